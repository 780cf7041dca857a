"""
wow_stats.reporting — Terminal formatting for CLI output.

Modules:
  formatters — ASCII formatters for ingestion results, the latest-day
               summary and the roster.
"""
