"""Human-readable wording for a verdict."""


def describe(verdict) -> str:
    """One-sentence summary of a verdict, worded by confidence band."""
    confidence = verdict.confidence
    if verdict.prediction == "real":
        if confidence > 0.9:
            return "This image appears to be a genuine photograph with high confidence."
        if confidence > 0.7:
            return "This image appears to be a real photograph, though there are some ambiguous elements."
        return "This image appears to be a real photograph, but our confidence is low."

    if confidence > 0.9:
        return "This image shows strong indicators of AI generation."
    if confidence > 0.7:
        return "This image appears to be AI-generated, though some elements look realistic."
    return "This image shows some signs of AI generation, but our confidence is low."
