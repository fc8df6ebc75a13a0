"""Pruned search versus brute-force reference comparison."""
