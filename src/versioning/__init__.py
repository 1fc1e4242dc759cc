"""Package identities, archive name parsing and version ordering."""
