from .core import Core
from .user_applications import UserApplications
from .indexer_services import IndexerServices
from .archive_node import ArchiveNode
from .mining import Mining
from .profile import Profile
from ..exceptions import UnknownProfileError

# When adding a profile, you must add an instantiation of it to the PROFILES list
# The order here is the order profiles appear in the wizard and in generated files

PROFILES = [
    Core(),
    UserApplications(),
    IndexerServices(),
    ArchiveNode(),
    Mining(),
]

PROFILE_CODES = [x.code for x in PROFILES]


def get_profile_by_code(code) -> Profile:
    try:
        return [x for x in PROFILES if x.code == code][0]
    except IndexError:
        raise UnknownProfileError(f"Unknown profile '{code}'")


# Keeps PROFILES order and drops unknown codes
def sort_profile_codes(codes):
    return [x.code for x in PROFILES if x.code in codes]
