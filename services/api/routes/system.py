from fastapi import APIRouter

from services.api.enums import ErrorMessages
from services.api.utils.error_handling import handle_generic_error, handle_key_error
from services.api.utils.system_utils import describe_interface, list_interface_descriptions

router = APIRouter()


@router.get("/health")
def health():
	return {"status": "ok"}


@router.get("/system/interfaces")
@handle_generic_error(500, ErrorMessages.NETWORK_INTERFACES_ERROR)
def get_network_interfaces():
	"""
	Returns a description for every network interface (for the capture form).
	"""
	descriptions = list_interface_descriptions()
	return {
		"interfaces": [
			{"name": name, "description": description}
			for name, description in descriptions.items()
		]
	}


@router.get("/system/interfaces/{name}")
@handle_key_error(404, ErrorMessages.INTERFACE_NOT_FOUND)
def get_network_interface(name: str):
	return {"name": name, "description": describe_interface(name)}
