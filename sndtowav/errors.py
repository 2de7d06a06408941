"""Exceptions raised while parsing and decoding 'snd ' resources."""


class SndError(Exception):
    """Base class; one resource failed to convert."""


class SndIOError(SndError):
    """Input ended early or a structure points outside the data."""


class EmptyResourceError(SndError):
    pass


class NoBufferCommandError(SndError):
    pass


class SampleNotInlineError(SndError):
    pass


class UnrecognizedEncodingError(SndError):
    def __init__(self, encoding):
        super().__init__(f"unrecognized sound header encoding 0x{encoding:02x}")
        self.encoding = encoding


class UnsupportedCodecError(SndError):
    def __init__(self, format_tag, compression_id, reason=None):
        tag = format_tag.decode('mac_roman', errors='replace')
        message = f"unsupported compression format '{tag}' (ID: {compression_id})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.format_tag = format_tag
        self.compression_id = compression_id


class InvalidChannelCountError(SndError):
    def __init__(self, num_channels, supported="IMA4 supports 1 or 2"):
        super().__init__(f"invalid number of channels ({num_channels}); {supported}")
        self.num_channels = num_channels


class UnsupportedBitDepthError(SndError):
    def __init__(self, bits_per_sample):
        super().__init__(f"{bits_per_sample}-bit samples are not supported, only 8-bit and 16-bit")
        self.bits_per_sample = bits_per_sample
