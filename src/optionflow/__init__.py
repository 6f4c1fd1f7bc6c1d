from __future__ import annotations

import logging

from optionflow.exceptions import EmptyOptionError, UnwrapError
from optionflow.option import (
    Absent,
    LazyOption,
    Nothing,
    Option,
    OptionKind,
    Present,
    Some,
    Variant,
    from_nullable,
    is_nothing,
    is_some,
    sequence_options,
    traverse_options,
)
from optionflow.result import Err, Ok, Result

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Option types
    "Option",
    "Some",
    "Nothing",
    "Present",
    "Absent",
    "Variant",
    "OptionKind",
    "LazyOption",
    "sequence_options",
    "traverse_options",
    "from_nullable",
    "is_some",
    "is_nothing",
    # Result collaborator
    "Result",
    "Ok",
    "Err",
    # Errors
    "UnwrapError",
    "EmptyOptionError",
]
