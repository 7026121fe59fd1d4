from airtable_records.cli import main

raise SystemExit(main())
