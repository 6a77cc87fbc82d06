from product_helper.llm.completion import CompletionInvoker, build_system_blocks

__all__ = ["CompletionInvoker", "build_system_blocks"]
