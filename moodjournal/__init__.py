# -*- coding: utf-8 -*-
"""MoodJournal package.

Modules:
    crypto:        Key derivation, AES-GCM text cipher, stored-value classifier.
    codec:         Fail-open encryption of a record's ``content`` field.
    exceptions:    Crypto error taxonomy.
    models:        Journal records and row mapping.
    stats:         Mood counts, streaks and writing-time summary.
    db:            SQLite schema + async data access.
    logic:         Journal service that composes db + codec.
    logging_utils: Logger wrappers and formatters.
"""

__all__ = ["crypto", "codec", "exceptions", "models", "stats", "db", "logic", "logging_utils"]
