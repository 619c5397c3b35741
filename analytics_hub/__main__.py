from analytics_hub.cli import main

raise SystemExit(main())
