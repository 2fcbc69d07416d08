"""Shared test data builders for the dealership API test suite."""
