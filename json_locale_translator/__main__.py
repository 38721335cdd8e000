import sys

from json_locale_translator.cli import main

sys.exit(main())
