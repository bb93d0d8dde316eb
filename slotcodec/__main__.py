import sys

from slotcodec.cli import main

sys.exit(main())
