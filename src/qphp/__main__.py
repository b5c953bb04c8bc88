from qphp.cli import main

raise SystemExit(main())
