"""site_audit.crawler: same-origin page discovery."""
