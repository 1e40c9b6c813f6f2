"""Example checklists built with qaflow."""
