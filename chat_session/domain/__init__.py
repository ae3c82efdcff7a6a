"""领域层模型与协议。

包含：
- models: Message / StreamResult 等统一数据模型。
- chain: 消息链存储抽象 ChainStore。
- exceptions: 业务异常类型定义。
"""
