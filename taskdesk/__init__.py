"""TaskDesk: task management API with invite / OTP onboarding."""
