from .base import Base
from .user_model import User
from .verification_code import VerificationCode
from .vocab_list import VocabList
from .user_vocab_download import UserVocabDownload

__all__ = ["Base", "User", "VerificationCode", "VocabList", "UserVocabDownload"]
