from .http_client import HttpClient


class Kernel:
    def __init__(self, http: HttpClient | None = None):
        self.http = http or HttpClient()
        self._plugins: dict[str, object] = {}

    def register(self, name: str, plugin):
        plugin.kernel = self
        self._plugins[name] = plugin

    def get(self, name: str):
        return self._plugins.get(name)

    def __getitem__(self, name: str):
        return self._plugins[name]

    async def close(self):
        await self.http.close()


def create_default_kernel(http: HttpClient | None = None) -> Kernel:
    """Create a kernel with the jobs and NAV plugins registered."""
    from plugins import JobsPlugin, NavPlugin

    kernel = Kernel(http=http)
    kernel.register("jobs", JobsPlugin())
    kernel.register("nav", NavPlugin())
    return kernel
