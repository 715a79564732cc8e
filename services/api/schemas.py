from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Optional, List, Union


class FilterAttributePayload(BaseModel):
	"""
	One filter attribute as submitted by the capture form.
	Enum fields accept names ("SingleTagged") or values (1, "oranyof").
	"""
	section: Union[int, str]
	operator: str
	kind: str
	input: str = ""  # whitespace separated tokens


class CompileFilterPayload(BaseModel):
	attributes: List[FilterAttributePayload] = Field(default_factory=list)


class CompiledFragment(BaseModel):
	kind: str
	section: str
	operator: str
	fragment: str


class CompileFilterResponse(BaseModel):
	expression: str  # "" = alle Pakete
	fragments: List[CompiledFragment] = Field(default_factory=list)


class CaptureCommandPayload(CompileFilterPayload):
	interface: str = "eth0"
	snapLength: int = 0  # -s snaplen (0 = full packet)
	packetCount: Optional[int] = None  # -c count
	outputFile: Optional[str] = None  # -w file
	promiscuousMode: bool = True  # -p flag disables promiscuous mode


class CaptureCommandResponse(BaseModel):
	expression: str
	command: List[str]
	commandLine: str
