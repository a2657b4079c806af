"""HTTP harness exposing the rate cache and accrual engine as JSON."""
