from __future__ import annotations

import logging
import shlex

from fastapi import APIRouter

from services.agent.capture_manager import build_capture_command
from services.agent.filter_composer import build_filter_expression, compile_attributes
from services.api.config import CAPTURE_BINARY, MAX_EXPRESSION_LENGTH
from services.api.schemas import (
	CaptureCommandPayload,
	CaptureCommandResponse,
	CompileFilterPayload,
	CompileFilterResponse,
	CompiledFragment,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _compile(payload: CompileFilterPayload):
	attributes = compile_attributes(attribute.model_dump() for attribute in payload.attributes)
	return attributes, build_filter_expression(attributes)


@router.post("/filters/compile", response_model=CompileFilterResponse)
def api_compile_filter(payload: CompileFilterPayload):
	attributes, expression = _compile(payload)
	logger.info("Filter kompiliert (%d Attribute): %r", len(attributes), expression)
	return CompileFilterResponse(
		expression=expression,
		fragments=[
			CompiledFragment(
				kind=attribute.kind.value,
				section=attribute.section.name.lower(),
				operator=attribute.operator.value,
				fragment=attribute.fragment,
			)
			for attribute in attributes
		],
	)


@router.post("/filters/command", response_model=CaptureCommandResponse)
def api_capture_command(payload: CaptureCommandPayload):
	_, expression = _compile(payload)
	command = build_capture_command(
		payload.interface,
		expression,
		binary=CAPTURE_BINARY,
		snap_length=payload.snapLength,
		packet_count=payload.packetCount,
		output_file=payload.outputFile,
		promiscuous=payload.promiscuousMode,
		max_expression_length=MAX_EXPRESSION_LENGTH,
	)
	return CaptureCommandResponse(expression=expression, command=command, commandLine=shlex.join(command))
