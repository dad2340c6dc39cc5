"""
ZPL Parser
==========

Converts raw ZPL bytes into label document models.

Only the subset of ZPL needed to lay out text and simple graphics is
understood; unknown commands are skipped so that real-world printer
output (which carries plenty of printer configuration) still parses.
"""

from typing import Callable, Dict, Iterator, List, NamedTuple, Optional
from abc import ABC, abstractmethod
import re

from zpl_render.config.logging import get_logger
from zpl_render.models.schemas import (
    ElementType,
    FieldOrientation,
    LabelDocument,
    LabelElement,
    LineColor,
)

logger = get_logger(__name__)

DEFAULT_FONT_NAME = "0"
DEFAULT_FONT_HEIGHT = 9

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_COMMAND_PREFIXES = "^~"
# Commands whose parameter is free text running up to the next caret.
_FREE_TEXT_COMMANDS = {"FD", "FX", "FV"}


class ZPLParseError(Exception):
    """Exception raised when ZPL parsing fails."""

    pass


class ZPLCommand(NamedTuple):
    """A single command as it appears in the input."""

    prefix: str
    code: str
    params: str
    offset: int


def tokenize(text: str) -> Iterator[ZPLCommand]:
    """
    Split ZPL text into commands.

    Args:
        text: ZPL with line breaks already removed

    Yields:
        Commands in input order
    """
    start = _find_prefix(text, 0)
    while start != -1:
        prefix = text[start]
        code = text[start + 1 : start + 3].upper()
        if prefix == "^" and code.startswith("A"):
            # ^A carries the font name directly after the command letter
            code = "A"
        params_start = start + 1 + len(code)

        if prefix == "^" and code in _FREE_TEXT_COMMANDS:
            end = text.find("^", params_start)
        else:
            end = _find_prefix(text, params_start)

        params = text[params_start:end] if end != -1 else text[params_start:]
        yield ZPLCommand(prefix=prefix, code=code, params=params, offset=start)
        start = end


def _find_prefix(text: str, start: int) -> int:
    positions = [p for p in (text.find(c, start) for c in _COMMAND_PREFIXES) if p != -1]
    return min(positions) if positions else -1


def _split_params(params: str) -> List[str]:
    return [p.strip() for p in params.split(",")] if params else []


def _int_param(command: ZPLCommand, values: List[str], index: int, default: Optional[int]) -> Optional[int]:
    """Read an integer parameter, falling back to ``default`` when it is omitted."""
    if index >= len(values) or values[index] == "":
        return default
    raw = values[index]
    if not _INTEGER_RE.fullmatch(raw):
        raise ZPLParseError(
            f"invalid value {raw!r} for ^{command.code} at offset {command.offset}"
        )
    return int(raw)


class _LabelState:
    """Accumulates fields between ^XA and ^XZ."""

    def __init__(self) -> None:
        self.document = LabelDocument()
        self.home_x = 0
        self.home_y = 0
        self.font_name = DEFAULT_FONT_NAME
        self.font_height = DEFAULT_FONT_HEIGHT
        self.font_width: Optional[int] = None
        self._reset_field()

        self._handlers: Dict[str, Callable[[ZPLCommand], None]] = {
            "LH": self._label_home,
            "FO": self._field_origin,
            "FT": self._field_typeset,
            "A": self._font,
            "CF": self._change_font,
            "FR": self._field_reverse,
            "FD": self._field_data,
            "FS": self._field_separator,
            "GB": self._graphic_box,
            "GC": self._graphic_circle,
            "GE": self._graphic_ellipse,
            "PW": self._print_width,
            "LL": self._label_length,
            "FX": self._comment,
        }

    def _reset_field(self) -> None:
        self.field_x = 0
        self.field_y = 0
        self.field_baseline = False
        self.field_font: Optional[tuple] = None
        self.field_orientation = FieldOrientation.NORMAL
        self.field_reverse = False
        self.field_elements: List[LabelElement] = []

    def apply(self, command: ZPLCommand) -> None:
        handler = self._handlers.get(command.code)
        if handler is None:
            logger.debug("Skipping unsupported ZPL command", command=command.code, offset=command.offset)
            return
        handler(command)

    def finish(self) -> LabelDocument:
        # A field left open at ^XZ is still printed
        self._flush_field()
        return self.document

    def _flush_field(self) -> None:
        self.document.elements.extend(self.field_elements)
        self._reset_field()

    def _field_position(self, command: ZPLCommand, baseline: bool) -> None:
        values = _split_params(command.params)
        self.field_x = self.home_x + (_int_param(command, values, 0, 0) or 0)
        self.field_y = self.home_y + (_int_param(command, values, 1, 0) or 0)
        self.field_baseline = baseline

    def _label_home(self, command: ZPLCommand) -> None:
        values = _split_params(command.params)
        self.home_x = _int_param(command, values, 0, 0) or 0
        self.home_y = _int_param(command, values, 1, 0) or 0

    def _field_origin(self, command: ZPLCommand) -> None:
        self._field_position(command, baseline=False)

    def _field_typeset(self, command: ZPLCommand) -> None:
        self._field_position(command, baseline=True)

    def _font(self, command: ZPLCommand) -> None:
        name = command.params[:1] or self.font_name
        values = _split_params(command.params[1:])
        orientation = values[0].upper() if values and values[0] else "N"
        try:
            self.field_orientation = FieldOrientation(orientation[:1])
        except ValueError:
            raise ZPLParseError(
                f"invalid orientation {orientation!r} for ^A at offset {command.offset}"
            )
        height = _int_param(command, values, 1, None)
        width = _int_param(command, values, 2, None)
        self.field_font = (name, height or self.font_height, width)

    def _change_font(self, command: ZPLCommand) -> None:
        values = _split_params(command.params)
        if values and values[0]:
            self.font_name = values[0][:1]
        self.font_height = _int_param(command, values, 1, self.font_height) or DEFAULT_FONT_HEIGHT
        self.font_width = _int_param(command, values, 2, None)

    def _field_reverse(self, command: ZPLCommand) -> None:
        self.field_reverse = True

    def _field_data(self, command: ZPLCommand) -> None:
        name, height, width = self.field_font or (self.font_name, self.font_height, self.font_width)
        self.field_elements.append(
            LabelElement(
                type=ElementType.TEXT,
                x=self.field_x,
                y=self.field_y,
                text=command.params,
                font_name=name,
                font_height=max(height, 1),
                font_width=max(width, 1) if width else None,
                orientation=self.field_orientation,
                baseline=self.field_baseline,
                reverse=self.field_reverse,
            )
        )

    def _field_separator(self, command: ZPLCommand) -> None:
        self._flush_field()

    def _line_color(self, command: ZPLCommand, values: List[str], index: int) -> LineColor:
        raw = values[index].upper() if index < len(values) and values[index] else "B"
        try:
            return LineColor(raw)
        except ValueError:
            raise ZPLParseError(f"invalid color {raw!r} for ^{command.code} at offset {command.offset}")

    def _graphic(self, element_type: ElementType, **fields) -> None:
        self.field_elements.append(
            LabelElement(
                type=element_type,
                x=self.field_x,
                y=self.field_y,
                reverse=self.field_reverse,
                **fields,
            )
        )

    def _graphic_box(self, command: ZPLCommand) -> None:
        values = _split_params(command.params)
        thickness = max(_int_param(command, values, 2, 1) or 1, 1)
        # Width and height never shrink below the line thickness
        width = max(_int_param(command, values, 0, thickness) or 0, thickness)
        height = max(_int_param(command, values, 1, thickness) or 0, thickness)
        rounding = min(max(_int_param(command, values, 4, 0) or 0, 0), 8)
        self._graphic(
            ElementType.BOX,
            width=width,
            height=height,
            thickness=thickness,
            color=self._line_color(command, values, 3),
            rounding=rounding,
        )

    def _graphic_circle(self, command: ZPLCommand) -> None:
        values = _split_params(command.params)
        diameter = max(_int_param(command, values, 0, 3) or 0, 3)
        thickness = max(_int_param(command, values, 1, 1) or 1, 1)
        self._graphic(
            ElementType.CIRCLE,
            width=diameter,
            height=diameter,
            thickness=thickness,
            color=self._line_color(command, values, 2),
        )

    def _graphic_ellipse(self, command: ZPLCommand) -> None:
        values = _split_params(command.params)
        thickness = max(_int_param(command, values, 2, 1) or 1, 1)
        width = max(_int_param(command, values, 0, thickness) or 0, thickness)
        height = max(_int_param(command, values, 1, thickness) or 0, thickness)
        self._graphic(
            ElementType.ELLIPSE,
            width=width,
            height=height,
            thickness=thickness,
            color=self._line_color(command, values, 3),
        )

    def _print_width(self, command: ZPLCommand) -> None:
        self.document.print_width = _int_param(command, _split_params(command.params), 0, None)

    def _label_length(self, command: ZPLCommand) -> None:
        self.document.label_length = _int_param(command, _split_params(command.params), 0, None)

    def _comment(self, command: ZPLCommand) -> None:
        pass


class BaseLabelParser(ABC):
    """Abstract base class for label markup parsers."""

    @abstractmethod
    def parse(self, data: bytes) -> List[LabelDocument]:
        """
        Parse raw markup into label documents.

        Raises:
            ZPLParseError: If the markup is malformed
        """
        pass


class ZPLParser(BaseLabelParser):
    """Parser for the supported ZPL subset."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self.logger = logger.bind(parser="zpl")

    def parse(self, data: bytes) -> List[LabelDocument]:
        """
        Parse ZPL bytes into one document per ^XA ... ^XZ block.

        Args:
            data: Raw ZPL bytes

        Returns:
            Label documents in input order, possibly empty

        Raises:
            ZPLParseError: If the bytes cannot be decoded, a label is left
                unterminated, or a numeric parameter is not an integer
        """
        try:
            text = data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ZPLParseError(f"input is not valid {self.encoding}: {e.reason} at byte {e.start}")

        # Line breaks carry no meaning outside field data either
        text = text.replace("\r", "").replace("\n", "")

        labels: List[LabelDocument] = []
        current: Optional[_LabelState] = None

        for command in tokenize(text):
            if command.prefix == "~":
                self.logger.debug("Skipping control command", command=command.code)
                continue

            if command.code == "XA":
                if current is not None:
                    raise ZPLParseError(
                        f"^XA at offset {command.offset} starts a label inside an unterminated label"
                    )
                current = _LabelState()
            elif command.code == "XZ":
                if current is not None:
                    labels.append(current.finish())
                    current = None
            elif current is not None:
                current.apply(command)

        if current is not None:
            raise ZPLParseError("unterminated label: missing ^XZ")

        self.logger.debug("Parsed ZPL", labels=len(labels), input_size=len(data))
        return labels


def parse_zpl(data: bytes) -> List[LabelDocument]:
    """
    Parse ZPL bytes with the default parser.

    Args:
        data: Raw ZPL bytes

    Returns:
        Parsed label documents
    """
    return ZPLParser().parse(data)
