from taghub.cli.main import main

raise SystemExit(main())
