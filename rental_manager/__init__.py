from .asset_client import AssetClient, AssetResponse
from .config import Settings, configure_logging, load_settings
from .errors import (
	AssetNotFound,
	BookingNotActive,
	BookingNotFound,
	BookingNotOverlapping,
	CollaboratorAssertionFailed,
	ConfigurationError,
	ConflictingBookingExists,
	IntervalInPast,
	InvalidInterval,
	RentalError,
	ResourceConflict,
	StoreError,
)
from .interval import Interval, is_valid, overlaps, restrict_to
from .models import AccessGrant, AssetAggregate, AssetDetails, AvailableAsset, Booking, BookingState
from .mongo_store import MongoStore
from .operations import RentalOperations
from .pseudo_store import PseudoStore
from .repository import BookingRepository
from .store import DocumentStore, DuplicateKeyError, FindOptions, NoDocumentsError
from .web_app import build_operations, create_app, parse_timestamp

__all__ = [
	"AccessGrant",
	"AssetAggregate",
	"AssetClient",
	"AssetDetails",
	"AssetNotFound",
	"AssetResponse",
	"AvailableAsset",
	"Booking",
	"BookingNotActive",
	"BookingNotFound",
	"BookingNotOverlapping",
	"BookingRepository",
	"BookingState",
	"CollaboratorAssertionFailed",
	"ConfigurationError",
	"ConflictingBookingExists",
	"DocumentStore",
	"DuplicateKeyError",
	"FindOptions",
	"Interval",
	"IntervalInPast",
	"InvalidInterval",
	"MongoStore",
	"NoDocumentsError",
	"PseudoStore",
	"RentalError",
	"RentalOperations",
	"ResourceConflict",
	"Settings",
	"StoreError",
	"build_operations",
	"configure_logging",
	"create_app",
	"is_valid",
	"load_settings",
	"overlaps",
	"parse_timestamp",
	"restrict_to",
]
