import sys

from vincent_scaffold.interfaces.cli import main

sys.exit(main())
