from retrace.cli import main

raise SystemExit(main())
