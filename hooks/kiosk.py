"""Kiosk hook for Troll (shared public terminal).

Usage:
    troll --hook hooks/kiosk.py

Removes page fetching, asks before pulling Reddit content, and talks like a pirate.
"""

# No arbitrary URL fetching on a shared screen
REMOVE_TOOLS = {"website_scraper"}

# Reddit content needs a yes from whoever is at the keyboard
GATED_TOOLS = {"reddit"}

PERSONALITY = "pirate"
