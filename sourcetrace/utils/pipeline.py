"""
SourceTrace Traceback Pipeline.

Config-driven coordinator used by the command line:
- Logging setup from the `output.logging` section
- Single-method traceback with result export
- Multi-method comparison (summary table per method)
- Scenario inspection: feasible sources and trajectory-space sizes, so the
  cost of exact enumeration is known before committing to it
"""

from pathlib import Path
from typing import Optional, Dict, Any, List, Iterable, Union
import logging
import time

from ..io_utils import Scenario, write_result, write_comparison, export_summary_tsv
from ..traceback_core import (
    MethodComparison,
    TracebackResult,
    compare_methods,
    count_trajectories,
    feasible_sources,
    parse_method,
    reach_counts,
    time_traceback,
)
from ..traceback_core.exact_estimator import ProgressCallback


class TracebackPipeline:
    """
    Runs tracebacks for one configuration.

    Manages:
    - Logging (file + console) configured once per process
    - Parameter resolution: explicit arguments override the configuration
    - Result export in the configured format
    """

    def __init__(self, config: Dict[str, Any], output_dir: Optional[Union[str, Path]] = None):
        """
        Initialize traceback pipeline.

        Args:
            config: Configuration dictionary (see config.schema.DEFAULT_CONFIG)
            output_dir: Directory for the log file and default outputs
        """
        self.config = config
        self.output_dir = Path(output_dir) if output_dir else Path.cwd()
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Setup logging
        log_config = config['output']['logging']
        log_level = getattr(logging, log_config['level'])
        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if log_config.get('log_file'):
            handlers.insert(0, logging.FileHandler(self.output_dir / log_config['log_file']))
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers,
        )
        self.logger = logging.getLogger(__name__)

    def _traceback_kwargs(
        self,
        scenario: Scenario,
        fraction: Optional[float],
        dev_frac: Optional[float],
    ) -> Dict[str, Any]:
        traceback_cfg = self.config['traceback']
        return {
            'prior': scenario.prior,
            'feasibility_fraction': fraction if fraction is not None else traceback_cfg['feasibility_fraction'],
            'transport_dev_frac': dev_frac if dev_frac is not None else traceback_cfg['transport_dev_frac'],
            'config': self.config,
        }

    def run(
        self,
        scenario: Scenario,
        method: Optional[Any] = None,
        fraction: Optional[float] = None,
        dev_frac: Optional[float] = None,
        output_path: Optional[Union[str, Path]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TracebackResult:
        """
        Run a single traceback.

        Args:
            scenario: Network, reports and prior
            method: Method id/name (default: traceback.method)
            fraction: Feasibility fraction (default: traceback.feasibility_fraction)
            dev_frac: Transport deviation fraction (default: traceback.transport_dev_frac)
            output_path: Write the result here if given
            progress_callback: Progress hook for exact enumeration

        Returns:
            TracebackResult
        """
        method = parse_method(method if method is not None else self.config['traceback']['method'])
        self.logger.info("=" * 60)
        self.logger.info(f"SourceTrace traceback: method {int(method)} ({method.name.lower()})")
        self.logger.info("=" * 60)

        result = time_traceback(
            method,
            scenario.network,
            scenario.reports,
            progress_callback=progress_callback,
            **self._traceback_kwargs(scenario, fraction, dev_frac),
        )

        for source, error in result.failures.items():
            self.logger.warning(f"Source {source} excluded: {error}")

        if output_path:
            output = self.config['output']
            write_result(result, output_path, fmt=output['format'],
                         include_failures=output.get('include_failures', True))
        return result

    def compare(
        self,
        scenario: Scenario,
        methods: Iterable[Any],
        fraction: Optional[float] = None,
        dev_frac: Optional[float] = None,
        output_path: Optional[Union[str, Path]] = None,
        summary_path: Optional[Union[str, Path]] = None,
    ) -> MethodComparison:
        """Run several methods and optionally export the comparison."""
        methods = [parse_method(m) for m in methods]
        start_time = time.time()
        self.logger.info(f"Comparing {len(methods)} methods: {[int(m) for m in methods]}")

        comparison = compare_methods(
            methods,
            scenario.network,
            scenario.reports,
            **self._traceback_kwargs(scenario, fraction, dev_frac),
        )
        self.logger.info(f"Comparison finished in {time.time() - start_time:.2f}s")

        if output_path:
            write_comparison(comparison, output_path, fmt=self.config['output']['format'])
        if summary_path:
            export_summary_tsv(comparison, summary_path)
        return comparison

    def inspect(self, scenario: Scenario, fraction: Optional[float] = None) -> Dict[str, Any]:
        """
        Feasible sources, reach counts and trajectory counts per feasible source.

        Trajectory counts are computed without enumerating any path.
        """
        fraction = fraction if fraction is not None else self.config['traceback']['feasibility_fraction']
        network, reports = scenario.network, scenario.reports
        sources = feasible_sources(network, reports.nodes, fraction)
        limit = self.config['exact']['max_trajectories']

        trajectories = {s: count_trajectories(network, reports, s) for s in sources}
        oversized = [s for s, n in trajectories.items() if n > limit]
        if oversized:
            self.logger.warning(
                f"{len(oversized)} source(s) exceed the {limit:,} trajectory limit: {oversized}"
            )

        return {
            'num_nodes': network.num_nodes,
            'num_edges': network.num_edges,
            'num_farms': network.num_farms,
            'num_reports': len(reports),
            'contaminated_nodes': reports.distinct_nodes,
            'feasibility_fraction': fraction,
            'reach_counts': reach_counts(network, reports.distinct_nodes),
            'feasible_sources': sources,
            'trajectory_counts': trajectories,
            'over_limit': oversized,
        }
