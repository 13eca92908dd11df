import sys

from internscout.cli import main

sys.exit(main())
