"""glTF 2.0 target format: constants, JSON schema records, buffer packing."""
