import sys

from wsinfra.cli import main

sys.exit(main())
