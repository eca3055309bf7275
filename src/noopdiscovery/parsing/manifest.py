#!/usr/bin/env python3
"""
NOOPDISCOVERY MANIFEST
----------------------
One parsed manifest file: its directives in source order and the
components they declare. A file may declare several components; each
starts at a COMPONENT directive and runs to the next one or end of file.
Manifests are rebuilt wholesale on every discovery and never mutated.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import logging
import os
from typing import List

from noopdiscovery.core.errors import ParseError
from noopdiscovery.core.models import Command, Directive
from noopdiscovery.graph.component import Component
from noopdiscovery.parsing.lexer import DirectiveLexer

logger = logging.getLogger("noopdiscovery.parser")


class Manifest:
    def __init__(self, path: str, directives: List[Directive], warnings: List[ParseError]):
        self.path = path
        self.root_path = os.path.dirname(path)
        self.directives = directives
        self.warnings = list(warnings)
        self.components = self._split_components()

    @classmethod
    def from_text(cls, text: str, path: str) -> "Manifest":
        lexer = DirectiveLexer()
        directives = lexer.parse(text, path)
        return cls(path, directives, lexer.warnings)

    @classmethod
    def from_file(cls, path: str) -> "Manifest":
        """Reads (BOM-aware) and parses a manifest. OS errors propagate."""
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                text = f.read()
        except UnicodeDecodeError as e:
            raise ParseError(f"Manifest is not valid UTF-8 (byte {e.start}: {e.reason})", path)
        return cls.from_text(text, path)

    def _split_components(self) -> List[Component]:
        blocks: List[List[Directive]] = []
        for directive in self.directives:
            if directive.command == Command.COMPONENT.value:
                blocks.append([directive])
            elif blocks:
                blocks[-1].append(directive)
            else:
                warning = ParseError(
                    f"Directive '{directive.command}' precedes any COMPONENT and is ignored",
                    directive.file, directive.line_no,
                )
                self.warnings.append(warning)
                logger.warning(str(warning))
        return [Component(block, self.root_path) for block in blocks]

    def __repr__(self) -> str:
        return f"Manifest(path={self.path!r}, components={[c.name for c in self.components]!r})"
