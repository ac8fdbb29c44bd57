import sys

from mail_extractor.cli.cli import main

sys.exit(main())
