"""setup.py for spaneval."""
import sys
from setuptools import setup

from spaneval import __version__

with open('README.rst') as inp:
	README = inp.read()

REQUIRES = [
		'numpy',  # '>=1.17'
		]
METADATA = dict(name='spaneval',
		version=__version__,
		description='Span-based confusion-matrix evaluation of parse trees',
		long_description=README,
		classifiers=[
				'Development Status :: 4 - Beta',
				'Environment :: Console',
				'Intended Audience :: Science/Research',
				'License :: OSI Approved :: GNU General Public License (GPL)',
				'Operating System :: POSIX',
				'Programming Language :: Python :: 3',
				'Topic :: Text Processing :: Linguistic',
		],
		install_requires=REQUIRES,
		extras_require={'test': ['pytest']},
		python_requires='>=3.6',
		packages=['spaneval'],
		entry_points={
				'console_scripts': ['spaneval = spaneval.cli:main']},
	)

if __name__ == '__main__':
	if sys.version_info[:2] < (3, 6):
		raise RuntimeError('Python version 3.6+ required.')
	setup(**METADATA)
