"""DevWars game lifecycle and settlement API."""
