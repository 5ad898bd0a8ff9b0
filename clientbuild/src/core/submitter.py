from clientbuild.src.core.errors import TransportFault
from clientbuild.src.core.models import BuildRequest, BuildResult


def submit_build_request(build_service, request: BuildRequest) -> BuildResult:
    """Send the build request once and read back the link matching the request.

    ``should_register_new_device`` decides which link is expected in the response.
    """
    response = build_service.create_ios_request(request.identity, request.to_payload())

    if request.should_register_new_device:
        url = response.get("registrationUrl")
        if not url:
            raise TransportFault("Build service response is missing registrationUrl")
        return BuildResult(registration_url=url)

    url = response.get("statusUrl")
    if not url:
        raise TransportFault("Build service response is missing statusUrl")
    return BuildResult(status_url=url)
