"""EXT_bim extension payloads attached to glTF assets, nodes and materials."""
