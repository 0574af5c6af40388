from content_history.domain.exceptions import ValidationError

CHANGE_TYPES = {"create", "update", "delete"}


def assert_change(change_type, old_value, new_value, *, element_id):
    if change_type not in CHANGE_TYPES:
        raise ValidationError(
            f"Unknown change type '{change_type}' for element {element_id}"
        )

    if (old_value is None) != (change_type == "create"):
        raise ValidationError(
            f"old_value must be null only for create ({element_id}: {change_type})"
        )

    if (new_value is None) != (change_type == "delete"):
        raise ValidationError(
            f"new_value must be null only for delete ({element_id}: {change_type})"
        )


def assert_change_set(changes):
    if not changes:
        raise ValidationError("Nothing to commit: change set is empty")

    seen = set()
    for change in changes:
        if change.element_id in seen:
            raise ValidationError(
                f"Element {change.element_id} appears twice in one change set"
            )
        seen.add(change.element_id)
        assert_change(
            change.change_type,
            change.old_value,
            change.new_value,
            element_id=change.element_id,
        )
