"""Test suite for the healthcheck monitor."""
