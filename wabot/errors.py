"""
异常定义模块 - wabot 的错误分类。

所有异常都继承自 WabotError，按发生位置划分：
- InitializationError：会话存储打开失败、设备信息读取失败
- ConnectError：与桥接服务建立连接失败
- RenderError：配对码渲染为图片失败
- SendError：出站消息发送失败
- NotInitializedError：客户端尚未创建时调用了需要客户端的操作

后台任务与事件回调中的异常只会写入日志缓冲区，不会导致进程崩溃；
只有 /send 的请求校验错误会直接返回给 HTTP 调用方。
"""


class WabotError(Exception):
    """wabot 所有异常的基类。"""


class InitializationError(WabotError):
    """会话存储或设备信息初始化失败（本次启动流程终止）。"""


class ConnectError(WabotError):
    """协议层连接失败，状态保持/回到 disconnected。"""


class RenderError(WabotError):
    """配对码渲染失败，跳过当前配对码，等待下一个。"""


class SendError(WabotError):
    """出站消息发送失败，不影响连接状态。"""


class NotInitializedError(WabotError):
    """协议客户端尚未初始化。"""
