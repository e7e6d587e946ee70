from livepack.cli import main

raise SystemExit(main())
