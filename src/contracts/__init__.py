"""Shared contracts between the timer core and its collaborators."""
