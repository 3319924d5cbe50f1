"""Frontend package - reads block programs and allocates names."""

from .blocks import Block, Program, block_to_dict, program_to_dict
from .load import load_program, program_from_json
from .names import NameRegistry, sanitize
