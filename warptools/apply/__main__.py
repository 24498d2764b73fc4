import logging
import re
import sys
from argparse import ArgumentParser
from ..errors import WarpError, ConfigurationError
from ..io import VolumeReader, VolumeWriter, load_transform
from .object import TransformApplier

logger = logging.getLogger('warptools.apply')

kinds = {'0': 'scalar', '1': 'vector', '2': 'tensor',
         'scalar': 'scalar', 'vector': 'vector', 'tensor': 'tensor'}


def parse_option(value):
    """Split ``NAME[p0,p1,...]`` into ``('NAME', ['p0', 'p1', ...])``."""
    match = re.fullmatch(r'\s*([^\[\]]*?)\s*(?:\[(.*)\])?\s*', value)
    if match is None:
        raise ConfigurationError('Cannot parse option {!r}'.format(value))
    name, params = match.groups()
    params = [p.strip() for p in params.split(',')] if params else []
    return name, params


def parse_interpolation(value):
    """Parse an interpolation option.

    Examples: ``Linear``, ``BSpline[5]``, ``Gaussian[1x1x2,1.5]``,
    ``MultiLabel[0.5,4]``.

    Returns
    -------
    name : str
    kwargs : dict
        Keyword arguments for ``make_interpolator``.

    """
    name, params = parse_option(value)
    kwargs = {}
    try:
        if name.lower() == 'bspline' and params:
            kwargs['order'] = int(params[0])
        elif name.lower() in ('gaussian', 'multilabel'):
            if params and params[0]:
                sigma = [float(s) for s in params[0].split('x')]
                kwargs['sigma'] = sigma[0] if len(sigma) == 1 else sigma
            if len(params) > 1 and params[1]:
                kwargs['alpha'] = float(params[1])
    except ValueError:
        raise ConfigurationError('Invalid parameters for interpolation '
                                 '{!r}'.format(value))
    return name, kwargs


def _parse_flagged(value, what):
    """Parse ``FILE`` or ``[FILE,0|1]``."""
    value = value.strip()
    if value.startswith('[') and value.endswith(']'):
        params = [p.strip() for p in value[1:-1].split(',')]
        if len(params) == 1:
            return params[0], False
        if len(params) == 2 and params[1] in ('0', '1'):
            return params[0], params[1] == '1'
        raise ConfigurationError('Cannot parse {} {!r}'.format(what, value))
    return value, False


def parse_transform(value):
    """Parse ``FILE`` or ``[FILE,useInverse]``."""
    return _parse_flagged(value, 'transform')


def parse_output(value):
    """Parse ``FILE`` or ``[FILE,printOutCompositeWarpFile]``."""
    return _parse_flagged(value, 'output')


#                           -------
#                           Options
#                           -------
parser = ArgumentParser(
    prog='warptools.apply',
    description='Transform an input image according to a reference image '
                'and a transform (or a set of transforms).')
parser.add_argument('--dimensionality', '-d', type=int, default=None,
                    choices=[2, 3, 4], dest='dim',
                    help='Spatial dimension [default: from reference]')
parser.add_argument('--input-image-type', '-e', default='scalar',
                    choices=list(kinds), dest='kind',
                    help='Input image type [default: scalar]')
parser.add_argument('--input', '-i', default=None, metavar='IMAGE',
                    help='Input image')
parser.add_argument('--reference-image', '-r', default=None,
                    dest='reference', metavar='IMAGE',
                    help='Reference image: defines the spacing, origin, '
                         'size and direction of the output')
parser.add_argument('--output', '-o', required=True, metavar='OUTPUT',
                    help='FILE, or [FILE,1] to write the displacement field '
                         'of the composite transform')
parser.add_argument('--displacement', default=False, action='store_true',
                    help='Write the displacement field of the composite '
                         'transform instead of a warped image')
parser.add_argument('--interpolation', '-n', default='Linear',
                    metavar='KERNEL',
                    help='Linear, NearestNeighbor, '
                         'MultiLabel[<sigma=spacing>,<alpha=4.0>], '
                         'Gaussian[<sigma=spacing>,<alpha=1.0>], '
                         'BSpline[<order=3>], CosineWindowedSinc, '
                         'WelchWindowedSinc, HammingWindowedSinc, '
                         'LanczosWindowedSinc, BlackmanWindowedSinc '
                         '[default: Linear]')
parser.add_argument('--transform', '-t', action='append', default=[],
                    dest='transforms', metavar='TRANSFORM',
                    help='FILE or [FILE,useInverse]. Transforms are pushed '
                         'on a stack in order: the last one is applied '
                         'first.')
parser.add_argument('--default-value', '-v', type=float, default=0.,
                    dest='default_value', metavar='VALUE',
                    help='Value of voxels that map outside of the input '
                         '[default: 0]')
parser.add_argument('--n-jobs', '-j', type=int, default=1, dest='n_jobs',
                    help='Number of threads [default: 1]')
parser.add_argument('--verbose', default=False, action='store_true',
                    help='Print progress information')


def main(argv=None):
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose
                        else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        if args.reference is None:
            raise ConfigurationError('No reference image specified')
        kind = kinds[args.kind]
        reader = VolumeReader()
        dim = args.dim
        if dim is None:
            dim = reader.inspect(args.reference)['dim']
        reference = reader.read_geometry(args.reference, dim=dim)

        transforms = []
        for value in args.transforms:
            fname, use_inverse = parse_transform(value)
            transforms.append((load_transform(fname, dim), use_inverse))

        applier = TransformApplier(default_value=args.default_value,
                                   n_jobs=args.n_jobs)
        output_file, displacement = parse_output(args.output)
        if args.displacement or displacement:
            output = applier(None, reference, transforms, dim=dim,
                             compute_displacement=True)
        else:
            if args.input is None:
                raise ConfigurationError('An input image is required')
            image = reader(args.input, kind=kind, dim=dim)
            name, kwargs = parse_interpolation(args.interpolation)
            output = applier(image, reference, transforms, dim=dim,
                             interpolation=name, **kwargs)
        VolumeWriter()(output, output_file)
    except WarpError as e:
        logger.error('%s', e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
