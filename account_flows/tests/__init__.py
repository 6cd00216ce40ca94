"""Tests for :mod:`account_flows`."""
