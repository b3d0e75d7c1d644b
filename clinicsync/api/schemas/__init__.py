"""Request/response schemas for the clinicsync API."""
