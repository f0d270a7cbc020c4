"""Tests for the ML engine components.

Unit tests for the value model, parameters, local algorithms, the PMML
scorer, the dispatcher, and remote connectors. Remote calls go through
``httpx.MockTransport``; no network access is needed.
"""
