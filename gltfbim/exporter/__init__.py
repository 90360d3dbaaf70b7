"""Deferred glTF export pipeline: record host events, replay into builders."""
