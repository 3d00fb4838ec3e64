"""Configuration, errors, money and HTTP plumbing."""
