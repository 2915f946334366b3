"""
GSTShaderGPU/algorithms/shaders.py
CUDA sources of the GPU shading passes.

Textures are row-major. "rgba8" textures hold terrarium-encoded elevation
(4 bytes per texel), "float32" textures hold meters directly. The mosaic
itself is an rgba8 texture, so the first blur pass always reads rgba8.
"""
from __future__ import annotations

from typing import Sequence

from .codec import TERRARIUM_OFFSET
from .composite import ResponseCurve

TEXTURE_TYPES = {
    "rgba8": "unsigned char",
    "float32": "float",
}

_CODEC_SOURCE = r'''
__device__ __forceinline__ float decode_terrarium(const unsigned char* px) {
    double e = (double)px[0] * 256.0 + (double)px[1] + (double)px[2] / 256.0 - OFFSET;
    return (float)e;
}

__device__ __forceinline__ void encode_terrarium(float elevation, unsigned char* px) {
    double v = (double)elevation + OFFSET;
    double r = floor(v / 256.0);
    double g = floor(v - r * 256.0);
    double b = (v - r * 256.0 - g) * 256.0;
    px[0] = (unsigned char)fmin(fmax(rint(r), 0.0), 255.0);
    px[1] = (unsigned char)fmin(fmax(rint(g), 0.0), 255.0);
    px[2] = (unsigned char)fmin(fmax(rint(b), 0.0), 255.0);
    px[3] = 255;
}

__device__ __forceinline__ float read_rgba8(const unsigned char* tex, int idx) {
    return decode_terrarium(tex + 4 * idx);
}

__device__ __forceinline__ float read_float32(const float* tex, int idx) {
    return tex[idx];
}

__device__ __forceinline__ void write_rgba8(unsigned char* tex, int idx, float v) {
    encode_terrarium(v, tex + 4 * idx);
}

__device__ __forceinline__ void write_float32(float* tex, int idx, float v) {
    tex[idx] = v;
}
'''.replace("OFFSET", f"{TERRARIUM_OFFSET:.1f}")


def blur_kernel_name(horizontal: bool, src_format: str, dst_format: str) -> str:
    direction = "h" if horizontal else "v"
    return f"blur_{direction}_{src_format}_to_{dst_format}"


def _blur_pass_source(horizontal: bool, src_format: str, dst_format: str) -> str:
    name = blur_kernel_name(horizontal, src_format, dst_format)
    src_t = TEXTURE_TYPES[src_format]
    dst_t = TEXTURE_TYPES[dst_format]
    if horizontal:
        sample = "int s = min(max(x + k, 0), width - 1);\n            acc += weights[k + radius] * read_{src}(src, y * width + s);"
    else:
        sample = "int s = min(max(y + k, 0), height - 1);\n            acc += weights[k + radius] * read_{src}(src, s * width + x);"
    sample = sample.format(src=src_format)
    return f'''
extern "C" __global__
void {name}(
    const {src_t}* src,
    {dst_t}* dst,
    const float* weights,
    int radius,
    int width, int height
) {{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x < width && y < height) {{
        float acc = 0.0f;
        // clamp-to-edge sampling
        for (int k = -radius; k <= radius; k++) {{
            {sample}
        }}
        write_{dst_format}(dst, y * width + x, acc);
    }}
}}
'''


def _combine_source(curve: ResponseCurve, num_scales: int, blurred_format: str, combine: str) -> str:
    blurred_t = TEXTURE_TYPES[blurred_format]
    if combine == "sum":
        init = "0.0f"
        accumulate = "total += delta * weights[k];"
    elif combine == "max":
        init = "-3.402823466e+38f"
        accumulate = "total = fmaxf(total, delta * weights[k]);"
    else:
        raise ValueError(f"Unknown combine mode '{combine}'")
    return curve.cuda_source("respond") + f'''
extern "C" __global__
void combine_scales(
    const unsigned char* original,
    const {blurred_t}* blurred,
    const float* weights,
    unsigned char* out,
    int width, int height,
    int color_r, int color_g, int color_b
) {{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x < width && y < height) {{
        int idx = y * width + x;
        int plane = width * height;
        float elevation = read_rgba8(original, idx);
        float total = {init};
        for (int k = 0; k < {num_scales}; k++) {{
            float delta = fmaxf(read_{blurred_format}(blurred + k * plane * {4 if blurred_format == "rgba8" else 1}, idx) - elevation, 0.0f);
            {accumulate}
        }}
        float alpha = respond(total);
        out[4 * idx + 0] = (unsigned char)color_r;
        out[4 * idx + 1] = (unsigned char)color_g;
        out[4 * idx + 2] = (unsigned char)color_b;
        out[4 * idx + 3] = (unsigned char)fminf(fmaxf(rintf(alpha), 0.0f), 255.0f);
    }}
}}
'''


def build_shader_source(curve: ResponseCurve, radii: Sequence[int], intermediate: str = "rgba8",
                        combine: str = "sum") -> str:
    """One CUDA module with both blur passes and the combine pass."""
    if intermediate not in TEXTURE_TYPES:
        raise ValueError(f"Unknown texture format '{intermediate}'")
    parts = [_CODEC_SOURCE, _blur_pass_source(True, "rgba8", intermediate)]
    parts.append(_blur_pass_source(False, intermediate, intermediate))
    parts.append(_combine_source(curve, len(radii), intermediate, combine))
    return "\n".join(parts)
