import sys

from s3_lite.cli import main

sys.exit(main())
