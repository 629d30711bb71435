from ema_scanner.services.scanner.main import main

raise SystemExit(main())
