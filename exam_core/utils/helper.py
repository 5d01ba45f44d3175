def split_name(name):
    """Split a display name into (first_name, last_name)."""
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def question_errors(question_type, options, correct_answer, marks):
    """
    Check a question definition against the rules of its type.

    Returns ``(errors, warnings)``. Errors make the question invalid;
    warnings are advisory only.
    """
    from ..models import Question

    errors = []
    warnings = []
    options = options or []

    if correct_answer is None or not str(correct_answer).strip():
        errors.append("Correct answer is required")
    elif len(str(correct_answer)) > 500:
        warnings.append("Correct answer is very long")

    if marks is None or marks < 1:
        errors.append("Marks must be at least 1")

    if question_type == Question.Types.MCQ:
        valid_options = [o for o in options if isinstance(o, str) and o.strip()]
        if len(set(valid_options)) < 2:
            errors.append("Multiple choice questions need at least 2 distinct non-empty options")
        if correct_answer not in valid_options:
            errors.append("Correct answer must match one of the options")
        if len(set(valid_options)) != len(valid_options):
            warnings.append("Duplicate options detected")

    elif question_type == Question.Types.TRUE_FALSE:
        if correct_answer not in ("True", "False"):
            errors.append('True/False questions must have "True" or "False" as correct answer')

    elif options:
        warnings.append("Options are ignored for this question type")

    return errors, warnings


def question_report(question_text, question_type, options, correct_answer, marks):
    """Full check used by the question validation endpoint, including advice on the text."""
    errors, warnings = question_errors(question_type, options, correct_answer, marks)

    text = (question_text or "").strip()
    if not text:
        errors.insert(0, "Question text is required")
    elif len(text) < 10:
        warnings.insert(0, "Question text seems too short")
    elif len(text) > 1000:
        warnings.insert(0, "Question text is very long, consider breaking it down")

    return {
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
    }
