"""领域层模型与协议。

包含：
- models: Message / Thread / ThreadSummary 及其记录格式。
- attempts: FailureKind / ProviderFailure / ProviderAttempt / ChainResult。
- threads: ThreadStore 持久化协议。
- exceptions: 业务异常类型定义。
"""
