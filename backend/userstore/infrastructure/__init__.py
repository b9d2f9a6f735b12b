"""Infrastructure — record store adapter and logging setup."""
