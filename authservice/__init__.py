"""OTP-gated account authentication service."""
