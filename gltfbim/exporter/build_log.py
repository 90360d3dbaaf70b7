"""Indented trace of one recording + replay session.

Begin/end messages ("+ ..." / "- ...") move the indent level so the trace
mirrors the element hierarchy:

    + view begin: Level 1
      + element begin: Wall 1234
      - element end
    - view end

Each ExportContext owns its own BuildLog; nothing is shared between
sessions.
"""

import logging


class BuildLog:
    """Session-scoped trace sink writing to a logging.Logger at DEBUG."""

    INDENT = "  "

    def __init__(self, logger=None):
        self._logger = logger or logging.getLogger("gltfbim.build")
        self._depth = 0

    @property
    def depth(self):
        return self._depth

    def reset(self):
        self._depth = 0

    def log(self, message):
        if message.startswith("-") and self._depth > 0:
            self._depth -= 1
        self._logger.debug("%s%s", self.INDENT * self._depth, message)
        if message.startswith("+"):
            self._depth += 1

    def log_element(self, message, element):
        self.log(f"{message}: {element.name} {element.id}")


class NullBuildLog(BuildLog):
    """Discards every message."""

    def __init__(self):
        super().__init__(logging.getLogger("gltfbim.build.null"))

    def log(self, message):
        pass
