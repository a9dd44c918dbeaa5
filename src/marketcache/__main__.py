import sys

from marketcache.app import main

sys.exit(main())
