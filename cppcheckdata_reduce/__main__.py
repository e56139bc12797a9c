"""Allow ``python -m cppcheckdata_reduce``."""

from cppcheckdata_reduce.main import main

raise SystemExit(main())
