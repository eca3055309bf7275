#!/usr/bin/env python3
"""
NOOPDISCOVERY LEXER - Directive Tokenizer (Phase 1)
---------------------------------------------------
Turns the raw text of one manifest into an ordered list of Directive
models. Structured commands get named parameters derived by fixed
per-command rules. A malformed or unrecognized line never aborts the
parse: it is recorded as a ParseError warning and the directive is still
emitted so the component builder can judge it.

Author: NoopDiscovery Team
Date: 2026-10-19
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from noopdiscovery.core.errors import ParseError
from noopdiscovery.core.models import Command, Directive

logger = logging.getLogger("noopdiscovery.parser")

_LEADING_INT = re.compile(r'^(\d+)')
_LEADING_FLOAT = re.compile(r'^(\d*\.?\d+)')


class DirectiveLexer:
    """
    Orchestrates the transition from manifest text to Directives.
    Holds the warnings of the most recent parse() call.
    """

    def __init__(self):
        self.warnings: List[ParseError] = []
        # Registry of structured commands and the rule deriving their params
        self.rules: Dict[Command, Callable[[Sequence[str], str], Dict[str, Any]]] = {
            Command.COMPONENT: self._rule_component,
            Command.ENV: self._rule_env,
            Command.EXPOSE: self._rule_expose,
            Command.CPU: self._rule_cpu,
            Command.MEMORY: self._rule_memory,
            Command.LIFECYCLE: self._rule_lifecycle,
            Command.CRON: self._rule_cron,
            Command.STATIC: self._rule_static,
            Command.ASSETS: self._rule_assets,
            Command.ROUTE: self._rule_route,
            Command.RESOURCE: self._rule_resource,
            Command.COPY: self._rule_transfer,
            Command.ADD: self._rule_transfer,
        }

    def _clean_artifacts(self, text: str) -> str:
        """Removes a UTF-8 BOM and standardizes line endings."""
        text = text.lstrip('\ufeff')
        return text.replace('\r\n', '\n').replace('\r', '\n')

    @staticmethod
    def normalize(line: str) -> str:
        """Trims the line and collapses interior whitespace runs to one space."""
        return " ".join(line.split())

    def parse(self, text: str, path: str) -> List[Directive]:
        """
        Decomposes manifest text into Directives, in source order.
        This is the primary interface for the Manifest builder.
        """
        # --- RESET GATE ---
        self.warnings = []
        directives = []

        for i, original_line in enumerate(self._clean_artifacts(text).split('\n'), 1):
            stripped = original_line.strip()
            if not stripped or stripped.startswith('#'):
                continue
            directives.append(self.tokenize(stripped, path, i))

        return directives

    def tokenize(self, line: str, path: str, line_no: int) -> Directive:
        """Builds one Directive from a non-blank, non-comment line."""
        tokens = self.normalize(line).split(" ")
        token, args = tokens[0], tuple(tokens[1:])
        command = Command.lookup(token)

        params: Dict[str, Any] = {}
        if command is None:
            self._warn(f"Unrecognized directive '{token}'", path, line_no)
        elif command in self.rules:
            try:
                params = self.rules[command](args, line)
            except ParseError as e:
                self._warn(f"Malformed {command.value} directive: {e.message}", path, line_no)

        return Directive(
            command=token,
            args=args,
            params=params,
            raw=line,
            file=path,
            line_no=line_no,
        )

    def _warn(self, message: str, path: str, line_no: int):
        warning = ParseError(message, path, line_no)
        self.warnings.append(warning)
        logger.warning(str(warning))

    # --- PER-COMMAND RULES ---

    def _rule_component(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if len(args) != 2:
            raise ParseError("expected 'COMPONENT <name> <type>'")
        return {"name": args[0], "type": args[1]}

    def _rule_env(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if not args:
            raise ParseError("expected 'ENV <key>[=<default>] [SECRET]'")
        key, sep, default = args[0].partition('=')
        if not key:
            raise ParseError("missing variable name")

        rest = list(args[1:])
        secret = bool(rest) and rest[-1] == "SECRET"
        if secret:
            rest.pop()

        value: Optional[str] = default if sep else None
        if not sep and rest:
            # Dockerfile form: ENV KEY value
            value = " ".join(rest)
        return {"key": key, "default": value, "secret": secret}

    def _rule_expose(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if len(args) != 1:
            raise ParseError("expected 'EXPOSE <port>'")
        port, _, _protocol = args[0].partition('/')
        if not port.isdigit():
            raise ParseError(f"port '{args[0]}' is not a number")
        return {"port": int(port)}

    def _rule_cpu(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        match = _LEADING_FLOAT.match(args[0]) if len(args) == 1 else None
        if not match:
            raise ParseError("expected 'CPU <units>'")
        return {"units": float(match.group(1))}

    def _rule_memory(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        match = _LEADING_INT.match(args[0]) if len(args) == 1 else None
        if not match:
            raise ParseError("expected 'MEMORY <units>'")
        return {"units": int(match.group(1))}

    def _rule_lifecycle(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if len(args) != 1:
            raise ParseError("expected 'LIFECYCLE <phase>'")
        return {"lifecycle": args[0]}

    def _rule_cron(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if not args:
            raise ParseError("expected 'CRON <schedule>'")
        return {"schedule": " ".join(args)}

    def _rule_static(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if len(args) != 1:
            raise ParseError("expected 'STATIC <directory>'")
        return {"content_directory": args[0]}

    def _rule_assets(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        if len(args) != 1:
            raise ParseError("expected 'ASSETS <directory>'")
        return {"directory": args[0]}

    def _rule_route(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        """ROUTE <pattern> [<method>] [-i|--internal] [-p|--private] [-c <expr>|--condition=<expr>]"""
        positional = []
        visibility = "public"
        condition = None

        it = iter(args)
        for token in it:
            if token in ("-i", "--internal"):
                visibility = "internal"
            elif token in ("-p", "--private"):
                visibility = "private"
            elif token in ("-c", "--condition"):
                condition = next(it, None)
                if condition is None:
                    raise ParseError(f"flag '{token}' needs a value")
            elif token.startswith("--condition="):
                condition = token.split("=", 1)[1]
            elif token.startswith("-"):
                raise ParseError(f"unknown ROUTE flag '{token}'")
            else:
                positional.append(token)

        if not positional or len(positional) > 2:
            raise ParseError("expected 'ROUTE <pattern> [<method>] [flags]'")
        method = positional[1].upper() if len(positional) == 2 else "*"
        return {
            "pattern": positional[0],
            "method": method,
            "visibility": visibility,
            "condition": condition,
        }

    def _rule_resource(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        """
        RESOURCE name=<n> type=<t> [setting=<k=v>]...
        The '--key=value' and '--key value' spellings are accepted too.
        """
        params: Dict[str, Any] = {"setting": []}
        pending: Optional[str] = None

        for token in args:
            if pending is not None:
                self._assign(params, pending, token)
                pending = None
                continue
            bare = token.lstrip('-')
            key, sep, value = bare.partition('=')
            if sep:
                self._assign(params, key, value)
            elif token.startswith('--'):
                pending = key
            else:
                raise ParseError(f"unexpected argument '{token}'")

        if pending is not None:
            raise ParseError(f"option '--{pending}' needs a value")
        if not params.get("name"):
            raise ParseError("missing 'name=<name>'")
        return params

    @staticmethod
    def _assign(params: Dict[str, Any], key: str, value: str):
        if key == "setting":
            params["setting"].append(value)
        elif key in ("name", "type"):
            params[key] = value
        else:
            raise ParseError(f"unknown option '{key}'")

    def _rule_transfer(self, args: Sequence[str], raw: str) -> Dict[str, Any]:
        """COPY/ADD [--flag=...] <src>... <dest>, or the JSON array form."""
        entries = [a for a in args if not a.startswith("--")]

        # Skip the command and any --flag tokens to find a JSON array body
        body = raw.split(None, 1)[1] if len(raw.split(None, 1)) > 1 else ""
        while body.startswith("--"):
            parts = body.split(None, 1)
            body = parts[1] if len(parts) > 1 else ""

        if body.startswith('[') and body.endswith(']'):
            try:
                parsed = json.loads(body)
            except ValueError:
                raise ParseError("invalid JSON array form")
            if not all(isinstance(p, str) for p in parsed):
                raise ParseError("JSON array form must contain only strings")
            entries = parsed

        if len(entries) < 2:
            raise ParseError("expected at least one source and a destination")
        return {"sources": list(entries[:-1]), "destination": entries[-1]}
