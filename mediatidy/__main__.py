import sys

from mediatidy.cli import main

sys.exit(main())
