import sys

from riskgen.cli import main

sys.exit(main())
