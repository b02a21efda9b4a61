"""Application state - active pointers, hydration lifecycle, tool switching."""
