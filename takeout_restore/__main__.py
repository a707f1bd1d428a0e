import sys

from takeout_restore.cli import main

sys.exit(main())
