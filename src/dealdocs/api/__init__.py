"""HTTP adapter for the document engine."""
