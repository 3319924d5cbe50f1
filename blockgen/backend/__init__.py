"""Backend package - precedence-aware code emission for block programs."""

from .dispatch import Dispatcher, EmitContext, EmitOptions
from .php import PhpBackend, emit_php
from .program import EmitResult, emit_program
