# subtakeover/__main__.py
import sys

from subtakeover.cli import main

sys.exit(main())
