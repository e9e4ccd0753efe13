"""BizFinder REST backend."""
