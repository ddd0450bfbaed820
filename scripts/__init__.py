"""Operator scripts installed as console entry points."""
