"""Serving surfaces exposing graph analytics over HTTP."""
