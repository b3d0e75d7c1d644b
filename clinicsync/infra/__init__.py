"""clinicsync.infra – persistence and external calendar integration."""
