"""Framework adapters exposing stored samples."""
