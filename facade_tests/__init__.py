"""Test package for mongo_facade."""
