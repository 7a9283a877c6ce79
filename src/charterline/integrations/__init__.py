"""Third-party integrations: provider APIs, OAuth install flow, payments."""
