"""Configuration module - re-exports all config values."""
from .paths import *
from .pipeline import *
from .redis import *
