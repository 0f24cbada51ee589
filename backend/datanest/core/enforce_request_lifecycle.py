"""Request/Proposal Lifecycle Enforcement — the single place where request and proposal
transitions are validated.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Return an error on violation, None on success — the shell raises it
    - A request has at most one accepted proposal; once set, status is in_progress or later
    - open -> in_progress happens ONLY through proposal acceptance
    - fulfilled and cancelled are terminal
    - A rejected proposal cannot be accepted later

Design Decisions:
    - Transition tables as dicts of frozensets: every legal edge visible in one place
    - Idempotent re-accept / re-reject detected by is_* predicates BEFORE the check_* chain,
      so the no-op path never looks like an error path
"""

from datanest.core.domain_types import ProposalStatus, RequestStatus
from datanest.core.errors import ConflictError, ErrorContext, InvalidTransitionError
from datanest.core.repository_protocols import ProposalLike, RequestLike


REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.OPEN: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.FULFILLED, RequestStatus.CANCELLED}),
    RequestStatus.FULFILLED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

PROPOSAL_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.PENDING: frozenset({ProposalStatus.ACCEPTED, ProposalStatus.REJECTED}),
    ProposalStatus.ACCEPTED: frozenset(),
    ProposalStatus.REJECTED: frozenset(),
}

# Statuses an external workflow may set directly; in_progress is acceptance-only
EXTERNAL_REQUEST_TARGETS = frozenset({RequestStatus.FULFILLED, RequestStatus.CANCELLED})


def _request_context(request: RequestLike) -> ErrorContext:
    return ErrorContext(resource_type="DatasetRequest", resource_id=str(request.id))


def check_request_transition(
    request: RequestLike, target: RequestStatus,
) -> InvalidTransitionError | None:
    current = RequestStatus(request.status)
    if target not in REQUEST_TRANSITIONS[current]:
        return InvalidTransitionError(
            "DatasetRequest", current.value, target.value, _request_context(request),
        )
    return None


def check_proposal_transition(
    proposal: ProposalLike, target: ProposalStatus,
) -> InvalidTransitionError | None:
    current = ProposalStatus(proposal.status)
    if target not in PROPOSAL_TRANSITIONS[current]:
        return InvalidTransitionError(
            "Proposal", current.value, target.value,
            ErrorContext(resource_type="Proposal", resource_id=str(proposal.id)),
        )
    return None


def is_already_accepted(request: RequestLike, proposal: ProposalLike) -> bool:
    """Re-accepting the exact accepted proposal is a no-op success."""
    return (
        request.accepted_proposal_id == proposal.id
        and proposal.status == ProposalStatus.ACCEPTED
    )


def is_already_rejected(proposal: ProposalLike) -> bool:
    return proposal.status == ProposalStatus.REJECTED


def check_exclusive_acceptance(
    request: RequestLike, proposal: ProposalLike,
) -> ConflictError | None:
    """Another proposal already won this request."""
    if (
        request.accepted_proposal_id is not None
        and request.accepted_proposal_id != proposal.id
    ):
        return ConflictError(
            "Another proposal has already been accepted for this request",
            "PROPOSAL_ALREADY_ACCEPTED", _request_context(request),
        )
    return None


def check_not_rejected(proposal: ProposalLike) -> ConflictError | None:
    if proposal.status == ProposalStatus.REJECTED:
        return ConflictError(
            "A rejected proposal cannot be accepted",
            "PROPOSAL_REJECTED",
            ErrorContext(resource_type="Proposal", resource_id=str(proposal.id)),
        )
    return None


def validate_acceptance(
    request: RequestLike, proposal: ProposalLike,
) -> ConflictError | None:
    """Chain all acceptance checks. Returns first error or None."""
    return (
        check_exclusive_acceptance(request, proposal)
        or check_not_rejected(proposal)
        or check_proposal_transition(proposal, ProposalStatus.ACCEPTED)
        or check_request_transition(request, RequestStatus.IN_PROGRESS)
    )


def validate_rejection(proposal: ProposalLike) -> ConflictError | None:
    return check_proposal_transition(proposal, ProposalStatus.REJECTED)


def check_accepting_proposals(request: RequestLike) -> ConflictError | None:
    """New proposals only while the request is open."""
    if request.status != RequestStatus.OPEN:
        return ConflictError(
            f"Request is {request.status} and no longer accepts proposals",
            "REQUEST_NOT_OPEN", _request_context(request),
        )
    return None


def validate_external_status_update(
    request: RequestLike, target: RequestStatus,
) -> ConflictError | None:
    """Fulfilment / cancellation hooks — never used to bypass acceptance."""
    if target not in EXTERNAL_REQUEST_TARGETS:
        return InvalidTransitionError(
            "DatasetRequest", request.status, target.value, _request_context(request),
        )
    error = check_request_transition(request, target)
    if error:
        return error
    if target == RequestStatus.FULFILLED and request.accepted_proposal_id is None:
        return ConflictError(
            "A request can only be fulfilled after a proposal was accepted",
            "NO_ACCEPTED_PROPOSAL", _request_context(request),
        )
    return None
