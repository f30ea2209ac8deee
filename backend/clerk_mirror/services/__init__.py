"""Business services for the Clerk mirror."""
