"""Policy deciding which reference embeddings are authoritative for a subject."""
from roster_verify.core.exceptions import ReferenceNotReadyError
from roster_verify.domain.entities.group import Group
from roster_verify.domain.entities.subject import Subject
from roster_verify.domain.value_objects.verification import ReferenceSelection, ReferenceSource


def select_references(subject: Subject, group: Group) -> ReferenceSelection:
    """Choose the reference set for a verification attempt.

    Priority order, first match wins:
        1. The subject's personal embedding, as a singleton set, whatever the
           state of the group's reference set.
        2. The group's shared reference set (possibly empty).

    Args:
        subject: Subject being verified
        group: Group owning the shared reference set

    Returns:
        ReferenceSelection naming the source and the embeddings to compare

    Raises:
        ReferenceNotReadyError: If the group set would be used while it is
            being regenerated or its last generation failed
    """
    if subject.personal_embedding is not None:
        return ReferenceSelection(
            source=ReferenceSource.PERSONAL,
            embeddings=[subject.personal_embedding],
        )

    if not group.is_usable:
        raise ReferenceNotReadyError(
            f"Reference set for group {group.id} is {group.reference_status.value}",
            details={
                "group_id": str(group.id),
                "reference_status": group.reference_status.value,
                "reference_error": group.reference_error,
            },
        )

    return ReferenceSelection(
        source=ReferenceSource.GROUP,
        embeddings=list(group.reference_set),
    )
