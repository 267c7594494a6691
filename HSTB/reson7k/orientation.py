"""
Beam direction math.

Frames are vessel fixed with x forward, y starboard and z down.  Angles are degrees unless the name says otherwise.
Takeoff angle (theta) is measured from vertical, azimuth (phi) in the horizontal plane from starboard toward forward,
so a beam lands at acrosstrack = r sin(theta) cos(phi), alongtrack = r sin(theta) sin(phi).
"""

import numpy as np


def rotation_matrix(roll, pitch, heading):
    """
    Rotation from the body frame to the local level frame for the given roll (starboard down positive), pitch (bow up
    positive) and heading (clockwise positive), R = Rz(heading) Ry(pitch) Rx(roll).  Inputs may be arrays, in which
    case the matrices are stacked on the leading axes.
    """
    r, p, h = np.deg2rad(roll), np.deg2rad(pitch), np.deg2rad(heading)
    r, p, h = np.broadcast_arrays(r, p, h)
    cr, sr = np.cos(r), np.sin(r)
    cp, sp = np.cos(p), np.sin(p)
    ch, sh = np.cos(h), np.sin(h)
    mat = np.empty(r.shape + (3, 3))
    mat[..., 0, 0] = ch * cp
    mat[..., 0, 1] = ch * sp * sr - sh * cr
    mat[..., 0, 2] = ch * sp * cr + sh * sr
    mat[..., 1, 0] = sh * cp
    mat[..., 1, 1] = sh * sp * sr + ch * cr
    mat[..., 1, 2] = sh * sp * cr - ch * sr
    mat[..., 2, 0] = -sp
    mat[..., 2, 1] = cp * sr
    mat[..., 2, 2] = cp * cr
    return mat


def correct_reverse_mount(roll, pitch, heading, steer):
    """
    A mount whose heading offset lies between 90 and 270 degrees is physically reversed.  Bring the heading back by
    180 and negate roll, pitch and the steering angle so the mount describes the same array facing forward.

    Returns
    -------
    tuple
        (roll, pitch, heading, steer) after correction
    """
    if 90.0 < heading % 360.0 < 270.0:
        return -roll, -pitch, heading - 180.0, -np.asarray(steer)
    return roll, pitch, heading, steer


def array_axis(mount, attitude, axis):
    """
    Unit vector along an array in the local level frame.

    Parameters
    ----------
    mount
        (roll, pitch, heading) installation angles of the array relative to the vessel
    attitude
        (roll, pitch, heading) of the vessel, scalars or per beam arrays
    axis
        the array axis in the mount frame, (1, 0, 0) for a transmitter, (0, 1, 0) for a receiver

    Returns
    -------
    np.ndarray
        (..., 3) unit vectors
    """
    vec = rotation_matrix(*mount) @ np.asarray(axis, dtype=np.float64)
    return np.einsum('...ij,j->...i', rotation_matrix(*attitude), vec)


def beam_vector(tx_axis, tx_steer, rx_axis, rx_steer):
    """
    Intersect the transmit cone (angle tx_steer from the plane normal to tx_axis) with the receive cone, returning the
    downward pointing solution.  Non intersecting cones give NaN.
    """
    tx_axis = np.asarray(tx_axis, dtype=np.float64)
    rx_axis = np.asarray(rx_axis, dtype=np.float64)
    s1 = np.sin(np.deg2rad(tx_steer))
    s2 = np.sin(np.deg2rad(rx_steer))
    d = np.sum(tx_axis * rx_axis, axis=-1)
    with np.errstate(divide='ignore', invalid='ignore'):
        denom = 1.0 - d * d
        a = (s1 - d * s2) / denom
        b = (s2 - d * s1) / denom
        csq = (1.0 - a * a - b * b - 2.0 * a * b * d) / denom
        csq = np.where((csq < 0) & (csq > -1e-9), 0.0, csq)
        c = np.sqrt(csq)
    normal = np.cross(tx_axis, rx_axis)
    # of the two roots take the one pointing down
    c = np.where(normal[..., 2] < 0, -c, c)
    return np.expand_dims(a, -1) * tx_axis + np.expand_dims(b, -1) * rx_axis + np.expand_dims(c, -1) * normal


def takeoff_from_vector(vec, reference_heading=0.0):
    """
    Takeoff and azimuth angles of local level unit vectors, azimuth relative to reference_heading (the vessel heading
    at transmit) so the result is in vessel coordinates.
    """
    vec = np.einsum('...ij,...j->...i', rotation_matrix(0.0, 0.0, -np.asarray(reference_heading)), vec)
    with np.errstate(invalid='ignore'):
        theta = np.rad2deg(np.arccos(np.clip(vec[..., 2], -1.0, 1.0)))
    phi = np.rad2deg(np.arctan2(vec[..., 0], vec[..., 1]))
    phi = np.where(np.isnan(vec[..., 2]), np.nan, phi)
    return theta, phi


def beam_takeoff(tx_mount, tx_attitude, tx_steer, rx_mount, rx_attitude, rx_steer, reference_heading):
    """
    Takeoff and azimuth for beams from the transmit side (mount, vessel attitude at transmit, along track steer) and
    receive side (mount, vessel attitude at receive, across track steer).  Both sides go through array_axis, only the
    array axis differs.

    Mounts are (roll, pitch, heading) and are reverse mount corrected here.
    """
    tx_roll, tx_pitch, tx_heading, tx_steer = correct_reverse_mount(*tx_mount, tx_steer)
    rx_roll, rx_pitch, rx_heading, rx_steer = correct_reverse_mount(*rx_mount, rx_steer)
    tx_axis = array_axis((tx_roll, tx_pitch, tx_heading), tx_attitude, (1.0, 0.0, 0.0))
    rx_axis = array_axis((rx_roll, rx_pitch, rx_heading), rx_attitude, (0.0, 1.0, 0.0))
    tx_axis, rx_axis = np.broadcast_arrays(tx_axis, rx_axis)
    tx_steer, rx_steer = np.broadcast_arrays(np.asarray(tx_steer, dtype=np.float64), np.asarray(rx_steer, dtype=np.float64))
    vec = beam_vector(tx_axis, tx_steer, rx_axis, rx_steer)
    return takeoff_from_vector(vec, reference_heading)


def rollpitch_to_takeoff(alongtrack_angle, acrosstrack_angle, roll, pitch):
    """
    Legacy conversion of along/across track beam angles plus roll and pitch to takeoff and azimuth, used for beam
    geometry derived angles.
    """
    alpha = np.deg2rad(np.asarray(alongtrack_angle) + pitch)
    beta = np.deg2rad(90.0 - (np.asarray(acrosstrack_angle) - roll))
    x = np.sin(alpha)
    y = np.cos(alpha) * np.cos(beta)
    z = np.cos(alpha) * np.sin(beta)
    theta = np.rad2deg(np.arccos(np.clip(z, -1.0, 1.0)))
    phi = np.where((x == 0) & (y == 0), 0.0, np.rad2deg(np.arctan2(x, y)))
    return theta, phi


def snell_rescale(angle, factor):
    """Rescale steering angles for a sound speed change, asin(factor * sin(angle))"""
    return np.rad2deg(np.arcsin(np.clip(factor * np.sin(np.deg2rad(angle)), -1.0, 1.0)))
