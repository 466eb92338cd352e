"""Configuration keys and defaults understood by the adapter."""

USER_APPID_KEY = "fs.ofs.user.appid"
TMP_CACHE_DIR_KEY = "fs.ofs.tmp.cache.dir"
META_SERVER_PORT_KEY = "fs.ofs.meta.server.port"
META_TRANSFER_USE_TLS_KEY = "fs.ofs.meta.transfer.tls"
BACKEND_IMPL_KEY = "fs.ofs.backend.impl"
LOCAL_ROOT_KEY = "fs.ofs.local.root"
USER_NAME_KEY = "fs.ofs.user.name"

DEFAULT_META_SERVER_PORT = 443
DEFAULT_META_TRANSFER_USE_TLS = True
DEFAULT_BACKEND_IMPL = "local"
