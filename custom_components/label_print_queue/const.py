DOMAIN = "label_print_queue"

# Configuration keys
CONF_PRINTER_TYPE = "printer_type"
CONF_NAME = "name"
CONF_HOST = "host"
CONF_PORT = "port"
CONF_SERIAL_PORT = "serial_port"
CONF_BAUDRATE = "baudrate"
CONF_PAPER_WIDTH = "paper_width"
CONF_PAPER_HEIGHT = "paper_height"
CONF_DARKNESS = "darkness"
CONF_SPEED = "speed"
CONF_DEFAULT_QUANTITY = "default_quantity"
CONF_TIMEOUT = "timeout"
CONF_CUT = "cut"
CONF_OUTPUT_DIR = "output_dir"
CONF_PRINTER_NAME = "printer_name"
CONF_PROFILE = "profile"
CONF_AUTO_OPEN = "auto_open"

# Default values
DEFAULT_PORT = 9100
DEFAULT_BAUDRATE = 9600
DEFAULT_TIMEOUT = 10.0
DEFAULT_CUT = "partial"
DEFAULT_QUANTITY = 1
DEFAULT_OUTPUT_DIR = "label_print_queue"

# Queue limits
MAX_QUEUE_SIZE = 50
MAX_QUANTITY_PER_ITEM = 100

# Badge pulse length in seconds
PULSE_DURATION = 1.0

# 203 dpi printheads
DOTS_PER_MM = 8

CUT_CHOICES: list[str] = ["none", "partial", "full"]

SERVICE_ADD_TO_QUEUE = "add_to_queue"
SERVICE_REMOVE_FROM_QUEUE = "remove_from_queue"
SERVICE_SET_QUANTITY = "set_quantity"
SERVICE_CLEAR_QUEUE = "clear_queue"
SERVICE_OPEN_QUEUE = "open_queue"
SERVICE_CLOSE_QUEUE = "close_queue"
SERVICE_PRINT_QUEUE = "print_queue"
SERVICE_RETRY_FAILED = "retry_failed"
SERVICE_CANCEL_PRINT = "cancel_print"
SERVICE_UPDATE_PRINTER_SETTINGS = "update_printer_settings"

ATTR_IDENTITY = "identity"
ATTR_QUANTITY = "quantity"
ATTR_LABEL = "label"
ATTR_TITLE = "title"
ATTR_SETTINGS = "settings"
ATTR_ENTRY_ID = "entry_id"
