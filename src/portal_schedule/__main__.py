import sys

from portal_schedule.cli import main

if __name__ == "__main__":
    sys.exit(main())
