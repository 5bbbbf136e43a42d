"""HTTP surface for ride matching and the service ledger."""
