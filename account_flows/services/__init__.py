"""Service integrations for account flows: persistence, cookies, codes, mail."""
