"""DuckDB storage gateway, schemas and repositories."""
