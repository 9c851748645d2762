"""Turn source text into something a speech synthesizer reads sensibly.

Speech engines skip or mangle most punctuation, which is exactly the part
of code a programmer needs to hear.  ``speakable`` replaces symbols with
spoken phrases before the text reaches the voice process.

Rules run in table order and each one scans the output of the previous
rule, so the order is load-bearing:

* a literal must come before every shorter literal it contains
  (``"==="`` before ``"=="`` before ``"="``), otherwise the shorter rule
  eats part of it first;
* a phrase must not contain any literal that appears later in the table,
  otherwise the phrase itself gets rewritten.

Both properties hold for ``SPEAKABLE_RULES`` and are checked by the tests.
Applying ``speakable`` twice is *not* idempotent: ``"single-quote"``
contains ``"-"``, which an earlier rule maps to ``"minus"`` on a second pass.
"""

from __future__ import annotations

import regex


SPEAKABLE_RULES: tuple[tuple[str, str], ...] = (
    ("===", "triple equals"),
    ("```", "triple backtick"),
    ("<=", "less than or equal to"),
    (">=", "greater than or equal to"),
    ("<>", "not equal to"),
    ("<<", "left shift"),
    (">>", "right shift"),
    ("__", "dunder"),
    ("==", "double equals"),
    ("++", "plus plus"),
    ("--", "minus minus"),
    ("+=", "plus equals"),
    ("-=", "minus equals"),
    ("[", "square bracket"),
    ("]", "close bracket"),
    ("(", "open paren"),
    (")", "close paren"),
    ("{", "open curly brace"),
    ("}", "close curly brace"),
    ("<", "open angle bracket"),
    (">", "close angle bracket"),
    (".", "dot"),
    ("&", "ref"),
    ("!", "bang"),
    ("#", "hash"),
    ("$", "dollarsign"),
    ("%", "percent"),
    ("^", "caret"),
    ("*", "asterisk"),
    ("+", "plus"),
    ("-", "minus"),
    ("=", "equals"),
    ("\\", "backslash"),
    ("|", "pipe"),
    ("/", "slash"),
    ("`", "backtick"),
    ("'", "single-quote"),
    (",", "comma"),
    (";", "semicolon"),
    (":", "colon"),
    ('"', "double-quote"),
    ("?", "question-mark"),
    ("_", "underscore"),
    ("~", "tilde"),
    ("@", "at-sign"),
    ("€", "euro"),
    ("£", "pound"),
    ("¥", "yen"),
)


def speakable(text: str, rules: tuple[tuple[str, str], ...] = SPEAKABLE_RULES) -> str:
    """Replace every symbol literal in *text* with ``" <phrase> "``.

    Text containing none of the literals is returned unchanged.
    """
    for literal, phrase in rules:
        if literal in text:
            text = text.replace(literal, f" {phrase} ")
    return text


def spell(text: str) -> str:
    """Spell *text* one grapheme cluster at a time: ``"ab"`` -> ``"a, b, "``."""
    return "".join(f"{g}, " for g in regex.findall(r"\X", text))
