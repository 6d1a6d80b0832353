from context_export.cli import main

raise SystemExit(main())
