"""HTTP layer for textforge."""
