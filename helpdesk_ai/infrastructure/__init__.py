"""Technical infrastructure shared by the bounded contexts: database and model gateway."""
