"""Services for crosslink."""

from crosslink.app.services.efiling_client import EFilingClient
from crosslink.app.services.peer_client import PeerClient
from crosslink.app.services.verification import VerificationResult, verify_work_request
from crosslink.app.services.video_archiving_client import VideoArchivingClient

__all__ = [
    "EFilingClient",
    "PeerClient",
    "VerificationResult",
    "VideoArchivingClient",
    "verify_work_request",
]
