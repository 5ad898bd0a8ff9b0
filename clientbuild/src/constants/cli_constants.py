from rich.text import Text

__version__ = "0.1.0"

APP_NAME = "clientbuild"
APP_DESCRIPTION = "Build a custom iOS client with your own Apple credentials"

DEFAULT_API_BASE_URL = "https://exp.host/--/api/v2"
DISABLED_SERVICES_DOCS_URL = (
    "https://docs.expo.io/versions/latest/guides/adhoc-builds/#fixing-disabled-services"
)

# Platform key used by the credential store
IOS_PLATFORM = "ios"


def get_banner_text() -> Text:
    banner = Text()
    banner.append("client", style="bold cyan")
    banner.append("build", style="bold magenta")
    return banner
