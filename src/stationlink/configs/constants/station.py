# -----------------------------------------------------------------------------
# Station Item / Program Constants
# -----------------------------------------------------------------------------

# Item types
ITEM_TYPE_ANY = -1
ITEM_TYPE_STATION = 1
ITEM_TYPE_ROBOT = 2
ITEM_TYPE_FRAME = 3
ITEM_TYPE_TOOL = 4
ITEM_TYPE_OBJECT = 5
ITEM_TYPE_TARGET = 6
ITEM_TYPE_PROGRAM = 8
ITEM_TYPE_INSTRUCTION = 9
ITEM_TYPE_PROGRAM_PYTHON = 10
ITEM_TYPE_MACHINING = 11
ITEM_TYPE_BALLBARVALIDATION = 12
ITEM_TYPE_CALIBPROJECT = 13
ITEM_TYPE_VALID_ISO9283 = 14

# Invalid handle type tag
ITEM_TYPE_INVALID = -1

# Joint vectors
MAX_JOINTS = 12
MAX_CONFIG = 8

# Move types
MOVE_TYPE_INVALID = -1
MOVE_TYPE_JOINT = 1
MOVE_TYPE_LINEAR = 2
MOVE_TYPE_CIRCULAR = 3

# Move target selectors
TARGET_SELECTOR_JOINTS = 1
TARGET_SELECTOR_POSE = 2
TARGET_SELECTOR_ITEM = 3

# Instruction types
INS_TYPE_INVALID = -1
INS_TYPE_MOVE = 0
INS_TYPE_MOVEC = 1
INS_TYPE_CHANGESPEED = 2
INS_TYPE_CHANGEFRAME = 3
INS_TYPE_CHANGETOOL = 4
INS_TYPE_CHANGEROBOT = 5
INS_TYPE_PAUSE = 6
INS_TYPE_EVENT = 7
INS_TYPE_CODE = 8
INS_TYPE_PRINT = 9

# Run modes
RUNMODE_SIMULATE = 1
RUNMODE_QUICKVALIDATE = 2
RUNMODE_MAKE_ROBOTPROG = 3
RUNMODE_MAKE_ROBOTPROG_AND_UPLOAD = 4
RUNMODE_MAKE_ROBOTPROG_AND_START = 5
RUNMODE_RUN_ROBOT = 6

# Program run types
PROGRAM_RUN_ON_SIMULATOR = 1
PROGRAM_RUN_ON_ROBOT = 2

# Instruction run types
INSTRUCTION_CALL_PROGRAM = 0
INSTRUCTION_INSERT_CODE = 1
INSTRUCTION_START_THREAD = 2
INSTRUCTION_COMMENT = 3
INSTRUCTION_SHOW_MESSAGE = 4

# Window states
WINDOWSTATE_HIDDEN = -1
WINDOWSTATE_SHOW = 0
WINDOWSTATE_MINIMIZED = 1
WINDOWSTATE_NORMAL = 2
WINDOWSTATE_MAXIMIZED = 3
WINDOWSTATE_FULLSCREEN = 4
WINDOWSTATE_CINEMA = 5
WINDOWSTATE_FULLSCREEN_CINEMA = 6

# Collision checking
COLLISION_OFF = 0
COLLISION_ON = 1

# Projection types
PROJECTION_NONE = 0
PROJECTION_CLOSEST = 1
PROJECTION_ALONG_NORMAL = 2
PROJECTION_ALONG_NORMAL_RECALC = 3

# Item link types
LINK_TYPE_ROBOT = ITEM_TYPE_ROBOT
LINK_TYPE_FRAME = ITEM_TYPE_FRAME
LINK_TYPE_TOOL = ITEM_TYPE_TOOL

# Fixed-point scaling used by integer-encoded real values
FIXED_POINT_SCALE = 1000.0

# Prefix returned by G_Param for unknown parameters
UNKNOWN_PARAM_PREFIX = "UNKNOWN "

# TCP calibration
CALIBRATE_TCP_BY_POINT = 0
CALIBRATE_TCP_BY_PLANE = 1

# Reference frame calibration
CALIBRATE_FRAME_3P_P1_ON_X = 0
CALIBRATE_FRAME_3P_P1_ORIGIN = 1
CALIBRATE_FRAME_6P = 2
CALIBRATE_TURNTABLE = 3

# Pose formats used by calibration inputs
EULER_RX_RYp_RZpp = 0
EULER_RZ_RYp_RXpp = 1
JOINT_FORMAT = -1

# Station window flags
FLAG_STATION_NONE = 0
FLAG_STATION_ALL = 0xFFFF

# Item flags
FLAG_ITEM_NONE = 0
FLAG_ITEM_ALL = 0xFF
