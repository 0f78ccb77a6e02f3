"""Ed25519 point test used to keep derived addresses unsignable.

A 32-byte string is "on curve" when it decompresses to a point of the
twisted Edwards curve -x^2 + y^2 = 1 + d*x^2*y^2 over GF(2^255 - 19). Any
such string could be a public key with a private key behind it; a derived
address must therefore be off curve.

Decompression follows the lenient rules signature libraries apply when
parsing keys: the sign bit is ignored and a non-canonical y is reduced
mod p.
"""

_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P
_Y_MASK = (1 << 255) - 1


def is_on_curve(point: bytes) -> bool:
    if len(point) != 32:
        raise ValueError(f"point must be 32 bytes, got {len(point)}")
    y = (int.from_bytes(point, "little") & _Y_MASK) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    # x^2 = u / v; v never vanishes because -1/d is not a square mod p
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    # Euler's criterion: x2 is a square iff x2^((p-1)/2) == 1
    return pow(x2, (_P - 1) // 2, _P) == 1
