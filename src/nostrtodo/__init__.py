"""
nostr-todo — a task list that lives on Nostr relays.

One signed, replaceable event per list. Fetched from whichever relay
answers first, committed back to every relay at once.
"""

__version__ = "0.0.4"
__author__ = "nostr-todo contributors"

APP_NAME = "nostr-todo"
