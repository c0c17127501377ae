"""领域层模型与协议。

包含：
- models: Turn / ProviderConfig / Exchange 等数据模型。
- transcript: 对话记录。
- exceptions: 错误类型定义。
"""
