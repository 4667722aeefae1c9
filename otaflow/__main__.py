import sys

from otaflow.app.main import main

sys.exit(main())
