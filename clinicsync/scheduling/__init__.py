"""clinicsync.scheduling – time model, admission rules and sync payloads."""
