"""Text Evaluator - exact equality of two UTF-8 bodies."""

from synapse_compare.domain.records import TextPayload


class TextEvaluator:
    """Binary text comparison: 100% on an exact match, 0% otherwise."""

    ENCODING = "utf-8"

    def evaluate(self, bytes1: bytes, bytes2: bytes) -> TextPayload:
        text1 = bytes1.decode(self.ENCODING, errors="replace")
        text2 = bytes2.decode(self.ENCODING, errors="replace")
        exact_match = text1 == text2
        return TextPayload(
            exact_match=exact_match, similarity_percent=100.0 if exact_match else 0.0
        )
