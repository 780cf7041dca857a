"""
Ingestion layer — provider client, extraction, storage, archival and fan-out.

Submodules:
  blizzard_client  — Blizzard character API (OAuth2 client credentials; fixture mode)
  extractor        — Declarative counter paths → CounterRecord (pure, total)
  snapshot_store   — Append-only character_stats sink with domain errors
  archive          — Pretty-printed, gzip-compressed raw document archive
  outcome          — Per-character task state and failure causes
  coordinator      — Bounded concurrent fan-out with a join barrier

Credential placement (.env, gitignored):
  BLIZZARD_CLIENT_ID         — Blizzard OAuth2 client ID
  BLIZZARD_CLIENT_SECRET     — Blizzard OAuth2 client secret
"""
