import sys

from registry_gate.validate_packages import main

sys.exit(main())
