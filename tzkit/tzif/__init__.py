"""Library for reading and evaluating compiled timezone data."""
