import sys

from drive_sync.cli import main

sys.exit(main())
