"""Shared application services for graphinsight surfaces."""
