"""Dataset adapters with their schemas, loaders and recipes."""
