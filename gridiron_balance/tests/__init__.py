"""Test suite for the Gridiron Balance pipeline."""
