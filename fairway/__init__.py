"""Fairway — charity golf tournament registration and live scoring."""
