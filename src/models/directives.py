"""
Directive and option models

Defines the inline directives a sample author writes (``// @name`` and
``// @name: value``), the analysis options they configure (CompilerConfig)
and the rendering switches they toggle (HandbookOptions).
"""

import sys
from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Literal, Optional, Type

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class DirectiveKind(Enum):
    """
    Shapes of inline directives

    FLAG directives carry no value and switch an option on; VALUED
    directives assign a raw string parsed per the option's declared type.
    """
    FLAG = "flag"        # // @noErrors
    VALUED = "valued"    # // @target: 3.10


@dataclass(frozen=True)
class Directive:
    """
    One directive parsed out of a sample

    Attributes:
        name: Directive name as written (without the leading @)
        raw_value: Text after the colon for VALUED directives, else None
        kind: FLAG or VALUED
        line_number: 1-based line of the directive in the raw sample
    """
    name: str
    raw_value: Optional[str]
    kind: DirectiveKind
    line_number: int = 0


def name_normalize(name: str) -> str:
    """Fold a directive or option name for case-insensitive lookup"""
    return name.lower().replace("_", "").replace("-", "")


TargetVersion = Literal["3.8", "3.9", "3.10", "3.11", "3.12", "3.13"]
ParseMode = Literal["exec", "eval", "single"]


class OptionModel(BaseModel):
    """
    Base for option records that directives mutate by name

    Assignment is validated, so a directive value of the wrong type raises
    pydantic.ValidationError instead of silently landing in the record.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    # Alternative directive spellings -> field name
    ALIASES: ClassVar[Dict[str, str]] = {}

    @classmethod
    def field_lookup(cls, name: str) -> Optional[str]:
        """
        Resolve a directive name to a field name

        Matching ignores case, underscores and hyphens, so ``noUnusedImports``
        finds ``no_unused_imports``.

        Returns:
            The field name, or None if the record has no such option
        """
        folded = name_normalize(name)
        for alias, field_name in cls.ALIASES.items():
            if name_normalize(alias) == folded:
                return field_name
        for field_name in cls.model_fields:
            if name_normalize(field_name) == folded:
                return field_name
        return None

    @classmethod
    def field_isFlag(cls, field_name: str) -> bool:
        """True if the field is a plain switch a valueless directive can turn on"""
        return cls.model_fields[field_name].annotation is bool

    def option_set(self, name: str, value: Any) -> str:
        """
        Assign an option by directive name

        Args:
            name: Directive name in any supported spelling
            value: Raw value (string from a VALUED directive, True for a FLAG)

        Returns:
            The resolved field name

        Raises:
            KeyError: If no option matches the name
            pydantic.ValidationError: If the value does not fit the option type
        """
        field_name = self.field_lookup(name)
        if field_name is None:
            raise KeyError(name)
        setattr(self, field_name, value)
        return field_name


def _target_current() -> str:
    current = f"{sys.version_info[0]}.{sys.version_info[1]}"
    return current if current in TargetVersion.__args__ else "3.12"


class CompilerConfig(OptionModel):
    """
    Analysis options for one sample

    Seeded from defaults for every sample and mutated by the sample's
    directives. Consumed by the analysis provider only.

    Attributes:
        target: Python grammar version samples are parsed against
        mode: compile() mode for the sample
        no_undefined_names: Report names that are read but never bound
        no_unused_imports: Report imported names that are never read
        max_line_length: Report longer lines (0 disables)
        builtins: Extra names treated as always bound
        filename: File name reported in diagnostics
        optimize: Optimization level for the emitted bytecode
    """

    target: TargetVersion = Field(default_factory=_target_current)
    mode: ParseMode = "exec"
    no_undefined_names: bool = True
    no_unused_imports: bool = False
    max_line_length: int = 0
    builtins: List[str] = Field(default_factory=list)
    filename: str = "input.py"
    optimize: int = -1

    @field_validator("builtins", mode="before")
    @classmethod
    def builtins_split(cls, value: Any) -> Any:
        """Accept the comma-separated directive form (``// @builtins: a, b``)"""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("target", mode="before")
    @classmethod
    def target_coerce(cls, value: Any) -> Any:
        """YAML reads ``target: 3.10`` as the float 3.1"""
        if isinstance(value, float):
            return "3.10" if value == 3.1 else str(value)
        return value

    @classmethod
    def defaults_load(cls: Type["CompilerConfig"], path: Optional[str] = None) -> "CompilerConfig":
        """
        Build the default option record

        Model defaults are overlaid by the mapping in a YAML file when a path
        is given. Called once at start-up; the result is treated as
        read-only and copied per sample.

        Args:
            path: Optional YAML file of option name -> value

        Returns:
            CompilerConfig holding the defaults
        """
        config = cls()
        if not path:
            return config

        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Compiler defaults in {path} must be a mapping")
        for name, value in data.items():
            config.option_set(str(name), value)
        return config


class HandbookOptions(OptionModel):
    """
    Rendering switches for one sample

    These never reach the analysis provider; they change what the
    compositor appends after the sample.
    """

    ALIASES: ClassVar[Dict[str, str]] = {
        "noErrors": "suppress_errors",
        "showEmit": "show_emitted_output",
    }

    suppress_errors: bool = False
    show_emitted_output: bool = False
