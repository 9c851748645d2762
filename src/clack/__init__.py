"""clack: a text editor you can hear.

Edits are narrated with synthesized tones and an external voice
program, so the buffer can be worked on without looking at it.
"""

__version__ = "0.1.0"
