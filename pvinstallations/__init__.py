"""PV installations API: production reports and aggregated timelines."""
