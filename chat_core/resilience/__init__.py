"""容错层。

- retry: 同一目标上的重试/退避策略 RetryPolicy。
- chain: 按优先级回退的 FallbackChain。
"""
