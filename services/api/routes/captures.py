from fastapi import APIRouter

from services.agent.process_manager import find_running_captures
from services.api.config import CAPTURE_BINARY
from services.api.enums import ErrorMessages
from services.api.utils.error_handling import handle_generic_error

router = APIRouter()


@router.get("/captures/running")
@handle_generic_error(500, ErrorMessages.PROCESS_LOOKUP_ERROR)
def get_running_captures():
	"""
	Lists capture processes that are already running, so the form can warn
	before a second capture on the same interface is started.
	"""
	processes = find_running_captures(CAPTURE_BINARY)
	return {
		"running": bool(processes),
		"processes": [
			{"pid": pid, "command": command}
			for pid, command in sorted(processes.items())
		],
	}
