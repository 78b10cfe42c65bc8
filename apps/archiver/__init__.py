"""
Archiver App - Phishing Report Export

Responsibilities:
- Scheduled execution (daily cron via APScheduler) or a single RUN_ONCE run
- Paginated collection of campaigns, groups, security tests and recipients
  from the reporting API (500 records per page)
- Flattening of nested records into single-level rows
- Writing one JSON Lines object per collection, and one per security test's
  recipients, to S3
- Bounded concurrency (5 pipelines) and an error budget (5 failures) for the
  per-test recipient exports

Output (S3 keys):
- campaigns/knowbe4_campaigns.json
- groups/knowbe4_groups.json
- campaigns/pst/knowbe4_security_tests.json
- recipients/knowbe4_recipients_<pst_id>.json
"""
