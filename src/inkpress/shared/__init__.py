"""Cross-cutting helpers: errors, the build report, text utilities."""
