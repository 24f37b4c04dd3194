import sys

from ctfile_cli.cli import main

sys.exit(main())
