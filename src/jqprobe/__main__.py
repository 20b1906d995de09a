import sys

from jqprobe.cli import main

sys.exit(main())
