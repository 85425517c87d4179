"""Best-frame selection over short collection windows."""
