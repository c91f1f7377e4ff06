import sys

from livedocs.cli import main

sys.exit(main())
