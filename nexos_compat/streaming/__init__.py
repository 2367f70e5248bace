from .rewriter import StreamFix, StreamRewriter, patch_record


__all__ = ["StreamFix", "StreamRewriter", "patch_record"]
