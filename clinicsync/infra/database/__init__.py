"""clinicsync.infra.database – async engine, ORM models and repositories."""
