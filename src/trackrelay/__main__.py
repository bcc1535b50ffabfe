import sys

from trackrelay.cli import main

sys.exit(main())
