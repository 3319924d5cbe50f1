"""blockgen - compile Blockly block programs to PHP source."""

__version__ = "0.1.0"
