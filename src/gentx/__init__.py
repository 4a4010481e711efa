from .errors import ConfigurationError, EncodingError, GentxError, ValidationError
from .tx import GenerationTransaction, OutPoint, TxIn, TxOut
from .coinbase import ScriptParts, build_script_parts
from .jobmaker import BlockTemplate, GenerationTxBuilder

__version__ = "0.1.0"
